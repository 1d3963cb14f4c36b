from helpdesk_copilot.integrations.mail.transport import MailTransport, StoredMailTransport

__all__ = ["MailTransport", "StoredMailTransport"]
