import os

APP_DIR = os.path.dirname(os.path.abspath(__file__))
CONFIG_DIR = os.environ.get('MODREPO_CONFIG_DIR', os.path.join(APP_DIR, 'config'))
CONFIG_FILE = os.environ.get('MODREPO_CONFIG_FILE', os.path.join(CONFIG_DIR, 'settings.yaml'))
DB_FILE = os.path.join(CONFIG_DIR, 'modrepo.db')
ALEMBIC_DIR = os.path.join(APP_DIR, 'migrations')
ALEMBIC_CONF = os.path.join(ALEMBIC_DIR, 'alembic.ini')

MODREPO_DB = 'sqlite:///' + DB_FILE

BUILD_VERSION = '20261018_0900'

DEFAULT_SETTINGS = {
    "database": {
        "url": MODREPO_DB,
        "auto_create": True,
    },
    "cache": {
        # Seconds a query result stays cached
        "ttl": 5,
    },
    "limits": {
        "backend": "memory",
        "redis_url": "redis://localhost:6379/0",
        "download_window_hours": 4,
        "versions_per_window": 5,
        "version_window_hours": 24,
        "http_default": ["300 per day", "100 per hour"],
        "http_storage_uri": "memory://",
    },
    "storage": {
        "bucket": "smr",
        "endpoint_url": None,
        "region": "us-east-1",
        "link_expiry": 3600,
    },
    "api": {
        "token": None,
    },
}

# Version domain
STABILITY_RELEASE = 'release'
STABILITY_BETA = 'beta'
STABILITY_ALPHA = 'alpha'

VERSION_STABILITIES = [
    STABILITY_RELEASE,
    STABILITY_BETA,
    STABILITY_ALPHA,
]

VERSION_ORDER_FIELDS = [
    'created_at',
    'updated_at',
    'downloads',
    'version',
    'size',
]

VERSION_PROJECTION_FIELDS = [
    'id',
    'mod_id',
    'version',
    'changelog',
    'key',
    'hash',
    'size',
    'game_version',
    'stability',
    'approved',
    'denied',
    'downloads',
    'metadata',
    'created_at',
    'updated_at',
]

ORDER_ASC = 'asc'
ORDER_DESC = 'desc'

FILTER_DEFAULT_LIMIT = 10
FILTER_MAX_LIMIT = 100
FILTER_DEFAULT_OFFSET = 0
FILTER_DEFAULT_ORDER_BY = 'created_at'
FILTER_DEFAULT_ORDER = ORDER_DESC

UNIQUE_ID_LENGTH = 14
