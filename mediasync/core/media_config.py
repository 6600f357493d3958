# --------------------------------------------------
# COLLECTION LIMITS
# --------------------------------------------------

# Hard cap on media items attached to one parent record
MAX_MEDIA_ITEMS = 5

# --------------------------------------------------
# BLOB KEYS
# --------------------------------------------------

# Role tags embedded in generated blob keys
ROLE_NEW = "new"
ROLE_REPLACE = "replace"

# Length of the random hex suffix in a blob key
KEY_SUFFIX_LENGTH = 12
