# custody_core/constants.py

# Reserved separators for derived-key inputs
STORAGE_SEPARATOR = "%"
CIPHER_SEPARATOR = "$"

# AES-256-CBC parameters
CIPHER_KEY_BYTES = 32
IV_BYTES = 16

# Terminal error messages of the registration machine
ERR_FETCHING_LOGINS = "Failed fetching login details"
ERR_ALREADY_REGISTERED = "Account already registered"
ERR_REGISTERING_ACCOUNT = "Failed registering account"
ERR_REGISTERING_APP_ACCOUNT = "Failed registering app account"

DEFAULT_STORAGE_PROVIDER = "sqlite"
DEFAULT_DB_PATH = "db/custody_state.db"
AUTH_TABLE = "auth"
