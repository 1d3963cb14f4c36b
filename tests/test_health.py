from pathlib import Path

from fastapi.testclient import TestClient

from helpdesk_copilot.api.app_factory import create_app
from helpdesk_copilot.core.settings import Settings


def test_health_endpoint_returns_ok(tmp_path: Path) -> None:
    settings = Settings(
        _env_file=None,
        workspace_dir=tmp_path,
        data_dir=Path("data"),
        db_path=Path("data/helpdesk.db"),
        chroma_dir=Path("data/chroma_exemplars"),
        groq_api_key="",
    )

    app = create_app(settings=settings)
    with TestClient(app) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "completion": "not_configured"}
    assert (tmp_path / "data" / "helpdesk.db").exists()
