"""
Django settings for the sitelinker_site project.

This file contains only the configuration the category site needs: the
sitelinker app, its templates, the location of the JSON data files and the
internal linking options. The site has no database; all content is read
from JSON files at startup.

Please consult the Django documentation for additional configuration
options: https://docs.djangoproject.com/en/4.2/ref/settings/
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from django.core.exceptions import ImproperlyConfigured

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-change-me')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.getenv('DJANGO_DEBUG', 'false').lower() == 'true'

# pytest-django imports settings before PYTEST_CURRENT_TEST is set
RUNNING_TESTS = os.getenv('PYTEST_CURRENT_TEST') is not None or 'pytest' in sys.modules
if RUNNING_TESTS:
    DEBUG = True

if not DEBUG and SECRET_KEY == 'django-insecure-change-me' and not RUNNING_TESTS:
    raise ImproperlyConfigured('DJANGO_SECRET_KEY must be set when DEBUG is False.')

ALLOWED_HOSTS: list[str] = [
    host.strip()
    for host in os.getenv('DJANGO_ALLOWED_HOSTS', '127.0.0.1,localhost,testserver').split(',')
    if host.strip()
]

# Application definition
INSTALLED_APPS = [
    'sitelinker',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'sitelinker_site.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
            ],
        },
    },
]

WSGI_APPLICATION = 'sitelinker_site.wsgi.application'

DATABASES: dict[str, dict[str, object]] = {}

# Internationalization
# https://docs.djangoproject.com/en/4.2/topics/i18n/

LANGUAGE_CODE = os.getenv('DJANGO_LANGUAGE_CODE', 'en-us')

TIME_ZONE = 'UTC'

USE_I18N = True

USE_TZ = True

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Security headers
SECURE_CONTENT_TYPE_NOSNIFF = True
X_FRAME_OPTIONS = 'DENY'
SECURE_REFERRER_POLICY = 'strict-origin-when-cross-origin'

# Category data and internal linking.
# LINKING overrides individual engine options on top of CONFIG_FILE, e.g.
# {'max_links_per_page': 3, 'placement_policy': {'one_link_per_paragraph': True}}
SITELINKER = {
    'DATA_DIR': Path(os.getenv('SITELINKER_DATA_DIR', BASE_DIR / 'data')),
    'ANCHORS_FILE': os.getenv('SITELINKER_ANCHORS_FILE', 'anchors.json'),
    'CONFIG_FILE': Path(os.getenv('SITELINKER_CONFIG_FILE', BASE_DIR / 'config' / 'internal_linking.yaml')),
    'LANGUAGE': os.getenv('SITELINKER_LANGUAGE', ''),
    'LINKING': {
        'enabled': os.getenv('SITELINKER_LINKING_ENABLED', 'true').lower() == 'true',
    },
}


log_level = os.getenv('DJANGO_LOG_LEVEL', 'INFO').upper()
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': log_level,
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': log_level,
            'propagate': False,
        },
        'sitelinker': {
            'handlers': ['console'],
            'level': os.getenv('SITELINKER_LOG_LEVEL', log_level).upper(),
            'propagate': False,
        },
    },
}
