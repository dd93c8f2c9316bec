"""Default configuration variables for FilePool"""

############### Directory Structure ###############
# Suffix appended to the pool root to form the tree holding encrypted entries
SECURED_SUFFIX = "_secured"
# Amount of directories when sharding a file id to form its bucket path
DIR_DEPTH = 3  # WARNING: DO NOT CHANGE ON AN EXISTING POOL
# Width of each directory name taken from the file id
DIR_WIDTH = 1  # WARNING: DO NOT CHANGE ON AN EXISTING POOL
# Example:
# Below, a file is listed in directories that are 3 levels deep (DIR_DEPTH=3),
# with each directory consisting of 1 character (DIR_WIDTH=1).
#    /var/filepool
#    └── 6
#        └── 1
#            └── e
#                └── 61e9b2d1-1738-440d-9b3d-e3c64876f2b0

############### Permissions ###############
# Mode used when creating bucket directories
DIR_MODE = 0o755
# Mode of a newly written secrets file (owner read-only)
SECRETS_FILE_MODE = 0o400
# Mode of the secrets file while it is being written
SECRETS_WRITE_MODE = 0o600

############### Encryption ###############
# Bytes read per chunk when streaming through the cipher
ENCRYPTION_BLOCK_SIZE = 1024 * 1024
# Key and IV lengths for AES-256-CBC, in bytes
KEY_LENGTH = 32
IV_LENGTH = 16
SALT_LENGTH = 16
# Iterations for the passphrase-derived key scheme (PBKDF2-HMAC-SHA256)
KDF_ITERATIONS = 200000
# Schemes recorded in the secrets file
SCHEME_RANDOM = "random"
SCHEME_PBKDF2 = "pbkdf2"
# Prefixes of temporary files produced by the cipher
ENCRYPT_TMP_PREFIX = "FilePool-encrypt"
DECRYPT_TMP_PREFIX = "FilePool-decrypt"

############### Options ###############
# Options accepted by `LocalFilePool` / `filepool.pool.setup`
KNOWN_OPTIONS = [
    "encryption_block_size",
    "secrets_file",
    "passphrase",
    "copy_source",
    "mode",
    "owner",
    "group",
    "tmp_dir",
]
