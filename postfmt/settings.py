"""
Django settings for postfmt project.
"""

import os
from pathlib import Path
from urllib.parse import urlparse

from django.utils.translation import gettext_lazy as _

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')

DEBUG = os.environ.get('DEBUG', 'True').lower() in ('true', '1', 'yes')

ALLOWED_HOSTS = os.environ.get('ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',')

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'formatting',
    'accounts',
    'posts',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.locale.LocaleMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'postfmt.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
                'posts.context_processors.notifications',
            ],
        },
    },
]

WSGI_APPLICATION = 'postfmt.wsgi.application'

# Database
if os.environ.get('DATABASE_URL'):
    import dj_database_url
    DATABASES = {'default': dj_database_url.config()}
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }

# Handle lookups are cached here
CACHES = {
    'default': {
        'BACKEND': os.environ.get('CACHE_BACKEND', 'django.core.cache.backends.locmem.LocMemCache'),
        'LOCATION': os.environ.get('CACHE_LOCATION', 'postfmt'),
    }
}

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
]

LANGUAGE_CODE = 'en'
LANGUAGES = [
    ('en', _('English')),
]
USE_I18N = True

TIME_ZONE = 'UTC'
USE_TZ = True

# Static files
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'whitenoise.storage.CompressedManifestStaticFilesStorage'},
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Email
EMAIL_BACKEND = os.environ.get(
    'EMAIL_BACKEND',
    'django.core.mail.backends.console.EmailBackend'
)
EMAIL_HOST = os.environ.get('EMAIL_HOST', 'localhost')
EMAIL_PORT = int(os.environ.get('EMAIL_PORT', 25))
DEFAULT_FROM_EMAIL = os.environ.get('DEFAULT_FROM_EMAIL', 'noreply@postfmt.local')

# Feature toggle for email notifications
ENABLE_EMAIL_NOTIFICATIONS = os.environ.get('ENABLE_EMAIL_NOTIFICATIONS', 'False').lower() in ('true', '1', 'yes')

# Public base URL used in mention and hashtag links
SITE_URL = os.environ.get('POSTFMT_SITE_URL', 'http://localhost:8000').rstrip('/')
SITE_HOST = urlparse(SITE_URL).netloc

# Formatter options
FORMATTING = {
    'MENTION': True,
    'HASHTAG': True,
    'URL': True,
    'EXTRA': os.environ.get('FORMATTING_EXTRA', 'True').lower() in ('true', '1', 'yes'),
    'SAFE_MENTION': os.environ.get('FORMATTING_SAFE_MENTION', 'False').lower() in ('true', '1', 'yes'),
    'MENTIONS_FORMAT': os.environ.get('FORMATTING_MENTIONS_FORMAT', 'local'),
    'REL': 'ugc',
    'CLASS': None,
    'NEW_WINDOW': False,
    'STRIP_PREFIX': False,
    'TRUNCATE': 0,
    'ALLOWED_TAGS': [
        'a', 'abbr', 'b', 'blockquote', 'br', 'code', 'del', 'em', 'h1', 'h2', 'h3',
        'h4', 'h5', 'h6', 'hr', 'i', 'li', 'ol', 'p', 'pre', 's', 'span', 'strong',
        'sub', 'sup', 'u', 'ul',
    ],
    'ALLOWED_ATTRIBUTES': {
        'a': ['href', 'class', 'rel', 'title', 'target', 'data-user', 'data-tag'],
        'abbr': ['title'],
        'span': ['class'],
        'code': ['class'],
    },
    'ALLOWED_PROTOCOLS': ['http', 'https', 'mailto', 'xmpp', 'gemini', 'magnet'],
    'MARKDOWN_EXTENSIONS': ['fenced_code', 'tables', 'sane_lists'],
    'RESOLVER': 'accounts.resolver.HandleResolver',
    'RESOLVER_CACHE_TIMEOUT': int(os.environ.get('RESOLVER_CACHE_TIMEOUT', 300)),
}

# Logging
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {'format': '{levelname} {name}: {message}', 'style': '{'},
    },
    'handlers': {
        'console': {'class': 'logging.StreamHandler', 'formatter': 'simple'},
    },
    'loggers': {
        'formatting': {'handlers': ['console'], 'level': LOG_LEVEL},
        'accounts': {'handlers': ['console'], 'level': LOG_LEVEL},
        'posts': {'handlers': ['console'], 'level': LOG_LEVEL},
    },
}

# Production security
if not DEBUG:
    CSRF_TRUSTED_ORIGINS = [f"https://{host}" for host in ALLOWED_HOSTS if host.startswith('.')]
    SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
