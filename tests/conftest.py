"""Test environment: in-memory SQLite, fixed signing secret, fast bcrypt. Set before app modules import."""

import os

os.environ["APP_ENV"] = "dev"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-signing-secret-with-enough-length-123"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["GALLERY_WRITE_REQUIRES_AUTH"] = "false"
os.environ.pop("SMTP_HOST", None)
os.environ.pop("CLOUDINARY_CLOUD_NAME", None)
