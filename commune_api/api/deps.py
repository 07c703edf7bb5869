"""Dependencies for external collaborators, overridable in tests via app.dependency_overrides."""

from commune_api.core.config import get_settings
from commune_api.services.mailer import Mailer, SmtpMailer
from commune_api.services.media import MediaStore


def get_mailer() -> Mailer:
    return SmtpMailer(get_settings())


def get_media_store() -> MediaStore:
    return MediaStore(get_settings())
