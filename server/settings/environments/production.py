"""Overriding settings for production.

Everything that has a development default must be configured
explicitly here.
"""

from server.settings.components import config
from server.settings.components.storages import STORAGES as _BASE_STORAGES

DEBUG = False

SECRET_KEY = config('DJANGO_SECRET_KEY')

ALLOWED_HOSTS = [
    config('DOMAIN_NAME'),
]

STORAGES = {
    **_BASE_STORAGES,
    'default': {
        'BACKEND': _BASE_STORAGES['default']['BACKEND'],
        'OPTIONS': {
            **_BASE_STORAGES['default']['OPTIONS'],
            'bucket_name': config('AWS_STORAGE_BUCKET_NAME'),
            'access_key': config('AWS_ACCESS_KEY_ID'),
            'secret_key': config('AWS_SECRET_ACCESS_KEY'),
            'region_name': config('AWS_S3_REGION_NAME', default='auto'),
        },
    },
}

SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
