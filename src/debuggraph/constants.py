"""Tuning constants for debuggraph.

All magic numbers live here so they can be tested and adjusted in one place.
"""

# --- Storage ---
DATA_DIR_ENV_VAR = "DEBUG_DATA_DIR"
DEFAULT_DATA_DIR_NAME = ".debug-thinking-mcp"
NODES_FILE = "nodes.jsonl"
EDGES_FILE = "edges.jsonl"
METADATA_FILE = "graph-metadata.json"
LOG_FILE = "debuggraph.log"

# --- Node defaults ---
DEFAULT_HYPOTHESIS_CONFIDENCE = 50
DEFAULT_LEARNING_CONFIDENCE = 70
DEFAULT_EDGE_STRENGTH = 1.0

# --- Error-type index ---
OTHER_ERROR_BUCKET = "other"

# --- Similarity signal weights (sum to 1.0) ---
WEIGHT_ERROR_TYPE = 0.20
WEIGHT_COMMON_SUBSTRING = 0.20
WEIGHT_EDIT_DISTANCE = 0.15
WEIGHT_KEY_PHRASE = 0.15
WEIGHT_WORD_OVERLAP = 0.20
WEIGHT_IDENTIFIER = 0.10

# Error-type signal
ERROR_TYPE_FAMILY_SCORE = 0.6  # same canonical type, different spelling
ERROR_TYPE_MISMATCH_SCORE = 0.1  # both typed, different types

# Longest common substring signal
MIN_COMMON_SUBSTRING_LENGTH = 3
COMMON_SUBSTRING_REFERENCE_LENGTH = 40  # overlaps this long count as full

# Edit distance signal
CHAR_EDIT_DISTANCE_MAX_LENGTH = 100  # above this, compare word sequences
PARTIAL_WORD_SUBSTITUTION_COST = 0.5
MAX_EDIT_DISTANCE_WORDS = 200

# Word overlap signal
SHORT_TOKEN_CUTOFF = 2  # tokens this short or shorter are dropped
MIN_PREFIX_MATCH_LENGTH = 4
PARTIAL_TOKEN_MATCH_CREDIT = 0.8

# Inputs longer than this are truncated before the quadratic signals run
MAX_SIMILARITY_TEXT_LENGTH = 500
TEXT_PROFILE_CACHE_SIZE = 4096

# --- Queries ---
DEFAULT_QUERY_LIMIT = 10
DEFAULT_MIN_SIMILARITY = 0.3
DEFAULT_RECENT_LIMIT = 10
CREATE_SIMILAR_LIMIT = 5
RELATED_PROBLEMS_LIMIT = 3
SIMILARITY_DECIMALS = 3

RECOMMENDED_EXPERIMENTS = (
    "Test the hypothesis in isolation",
    "Create a minimal reproducible example",
    "Check assumptions with logging",
)

# --- Time ---
SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400
SECONDS_PER_WEEK = 604800
SECONDS_PER_MONTH = 2592000  # 30 days
SECONDS_PER_YEAR = 31536000  # 365 days
