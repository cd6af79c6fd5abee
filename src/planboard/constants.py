DATA_DIR_NAME = ".planboard"
STORE_FILE = "planboard.yaml"
LOCK_FILE = "planboard.lock"
CONFIG_FILE = "config.yaml"
BACKUPS_DIR = "backups"
BACKUP_PREFIX = "planboard-backup-"

STORE_SCHEMA_VERSION = 1
DEFAULT_LOCK_TIMEOUT = 10.0  # seconds

DEFAULT_TOKEN_EXPIRE_MINUTES = 7 * 24 * 60
DEFAULT_SECRET_KEY = "dev-secret-change-in-production"
JWT_ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 6
DEFAULT_BCRYPT_ROUNDS = 12

DEFAULT_BOARD_NAME = "Main Board"
DEFAULT_COLUMNS = ("To Do", "In Progress", "Review", "Done")
DONE_COLUMN_NAME = "Done"

TASK_PRIORITIES = ("low", "medium", "high", "urgent")
USER_ROLES = ("user", "admin")
MEMBER_ROLES = ("owner", "admin", "member")
MANAGER_ROLES = ("owner", "admin")
EVENT_TYPES = ("event", "deadline", "meeting", "reminder")
DIARY_CATEGORIES = ("meeting", "action", "note", "decision", "follow-up")

SEARCH_RESULT_LIMIT = 100
DIARY_BY_DATE_LIMIT = 30
TEST_USER_EMAIL_PREFIX = "test"
TEST_USER_EMAIL_SUFFIX = "@example.com"

# Collections held in the store document, in write order.
COLLECTIONS = (
    "users",
    "projects",
    "project_members",
    "boards",
    "columns",
    "tasks",
    "dependencies",
    "events",
    "diary_entries",
    "goals",
)
