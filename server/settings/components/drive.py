"""Settings for the drive app."""

from server.settings.components import config

# Lifetime of signed download references, in seconds
DRIVE_SIGNED_URL_TTL = config('DRIVE_SIGNED_URL_TTL', cast=int, default=3600)

# Public links are built as {DRIVE_SHARE_BASE_URL}/shared/{token}
DRIVE_SHARE_BASE_URL = config(
    'DRIVE_SHARE_BASE_URL',
    default='http://localhost:5173',
)

# Trash older than this is purged by `manage.py cleanup_trash`
DRIVE_TRASH_RETENTION_DAYS = config(
    'DRIVE_TRASH_RETENTION_DAYS',
    cast=int,
    default=30,
)
