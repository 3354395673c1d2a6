"""Escrow engine configuration constants.

Keep this file aligned with the constants declared at the top of the
`sync-distributor` and marketplace contracts.
"""

# Value bounds (Clarity `uint` is 128-bit)
U128_MAX = (1 << 128) - 1
PRINCIPAL_SIZE = 32

# Units
MICRO_PER_TOKEN = 1_000_000

# Dispute arbitration
RESOLUTION_WINDOW = 144  # ~1 day at a 10-minute block cadence

# Text limits (string-utf8 lengths)
MAX_DESCRIPTION_LEN = 256
MAX_REASON_LEN = 256
MAX_COMMENT_LEN = 256
MAX_TITLE_LEN = 64
MAX_FUNCTION_NAME_LEN = 128
MAX_CALL_ARGS = 16

# Ratings
MIN_RATING = 1
MAX_RATING = 5

# Genesis
GENESIS_HEIGHT = 1
FIRST_ENTRY_ID = 1
FIRST_LISTING_ID = 1
