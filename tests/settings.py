"""
Django settings for testing nestedsets
"""

import os


def get_db_conf():
    """
    Configures database according to the DATABASE_ENGINE environment
    variable. Defaults to SQlite.

    This method is used to let CI run against different database backends.
    """
    database_engine = os.environ.get('DATABASE_ENGINE', 'sqlite')
    if database_engine == 'sqlite':
        return {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': ':memory:'
        }
    elif database_engine == 'psql':
        return {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': 'nestedsets_test',
            'USER': 'postgres',
            'PASSWORD': os.environ.get('DATABASE_PASSWORD', ''),
            'HOST': '127.0.0.1',
            'PORT': '',
        }
    elif database_engine == "mysql":
        return {
            'ENGINE': 'django.db.backends.mysql',
            'NAME': 'nestedsets_test',
            'USER': 'root',
            'PASSWORD': os.environ.get('DATABASE_PASSWORD', ''),
            'HOST': '127.0.0.1',
            'PORT': '',
        }
    raise ValueError('Unknown DATABASE_ENGINE: %s' % database_engine)


DATABASES = {'default': get_db_conf()}
SECRET_KEY = 'n3st3ds3ts'
USE_TZ = True
DEFAULT_AUTO_FIELD = 'django.db.models.AutoField'

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'nestedsets',
    'tests',
]

# This little hacks forces Django into the old syncdb behaviour,
# creating models without migrations.

MIGRATION_MODULES = {app.split('.')[-1]: None for app in INSTALLED_APPS}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'console': {'class': 'logging.StreamHandler'},
    },
    'loggers': {
        'nestedsets': {
            'handlers': ['console'],
            'level': os.environ.get('NESTEDSETS_LOG_LEVEL', 'WARNING'),
        },
    },
}
