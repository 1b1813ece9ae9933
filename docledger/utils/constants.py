"""Named constants for DocLedger. No magic numbers."""

# --- Application ---
APP_NAME = "DocLedger"
APP_VERSION = "0.1.0"

# --- Fingerprint Format ---
FINGERPRINT_PREFIX = "0x"
FINGERPRINT_HEX_LENGTH = 64  # 32-byte digest rendered as hex
FINGERPRINT_DIGEST_SIZE = 32
MAX_FINGERPRINT_VALUE = 2 ** 256  # Exclusive upper bound for numeric inputs

# --- Hashing ---
HASH_CHUNK_SIZE = 1024 * 1024  # Bytes read per chunk when streaming files

# --- Default Ledger Endpoint (local Hardhat node) ---
DEFAULT_CHAIN_ID = "0x7a69"  # 31337
DEFAULT_CHAIN_NAME = "Hardhat Localhost"
DEFAULT_RPC_URL = "http://127.0.0.1:8545"
DEFAULT_AGENT_URL = "http://127.0.0.1:8545"
DEFAULT_CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
DEFAULT_VERIFY_BASE_URL = "http://localhost:3000"

# --- Registry Functions (names and argument order are fixed by the contract) ---
REGISTRY_ADD_FUNCTION = "addDocumentHash"
REGISTRY_VERIFY_FUNCTION = "verifyDocument"
REGISTRY_DETAILS_FUNCTION = "getStudentDetails"

# --- Signing Agent Error Codes (EIP-1193 / JSON-RPC) ---
AGENT_USER_REJECTED = 4001
AGENT_UNAUTHORIZED = 4100
AGENT_UNRECOGNIZED_CHAIN = 4902
RPC_EXECUTION_REVERTED = 3
RPC_SERVER_ERROR = -32000

# --- API Retry / Timeout ---
API_MAX_RETRIES = 3
API_RETRY_BACKOFF_SECONDS = 1.0  # Base wait between retries (multiplied by attempt)
API_TIMEOUT_SECONDS = 10  # Default HTTP request timeout
RECEIPT_TIMEOUT_SECONDS = 120  # Max wait for a transaction to be mined
RECEIPT_POLL_INTERVAL_SECONDS = 1.0

# --- Batch Verification ---
DEFAULT_MAX_CONCURRENT_VERIFICATIONS = 4
MAX_CONCURRENT_VERIFICATIONS_LIMIT = 16

# --- Recent Activity ---
RECENT_ACTIVITY_CAPACITY = 5

# --- Spreadsheet Import ---
SPREADSHEET_EXTENSIONS = frozenset({".xlsx", ".xlsm", ".csv"})
LEGACY_SPREADSHEET_EXTENSIONS = frozenset({".xls"})  # binary BIFF workbooks, not readable by openpyxl
SPREADSHEET_LABEL_COLUMN = 0
SPREADSHEET_HASH_COLUMN = 1

# --- Paths ---
DEFAULT_CONFIG_FILENAME = "config.yaml"
DEFAULT_DB_FILENAME = "docledger.db"
BATCH_REPORT_BASENAME = "_verification_report"

# --- Report Strings ---
REPORT_TITLE = "DocLedger -- Batch Verification Report"
