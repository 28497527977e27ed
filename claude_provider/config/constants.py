"""Configuration constants for the Claude provider."""

# OAuth endpoints
CLAUDE_AUTH_URL = "https://claude.ai/oauth/authorize"
CLAUDE_TOKEN_URL = "https://console.anthropic.com/v1/oauth/token"
CLAUDE_ORGANIZATIONS_URL = "https://claude.ai/api/organizations"
CLAUDE_REDIRECT_URI = "https://console.anthropic.com/oauth/code/callback"
CLAUDE_CLIENT_ID = "9d1c250a-e61b-44d9-88ed-5944d1962f5e"

# OAuth scopes
CLAUDE_SCOPES = "org:create_api_key user:profile user:inference"
CLAUDE_SCOPES_SETUP = "user:inference"

# Browser identity used by the session-cookie flow
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
)
CLAUDE_WEB_ORIGIN = "https://claude.ai"
CLAUDE_WEB_REFERER = "https://claude.ai/new"

# Anthropic API
CLAUDE_API_BASE_URL = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"

# AWS Bedrock
BEDROCK_DEFAULT_REGION = "us-east-1"
BEDROCK_SERVICE = "bedrock"

# Refresh policy
MIN_REFRESH_TOKEN_LENGTH = 50  # shorter tokens were truncated upstream
EXPIRED_MARGIN_MINUTES = 5
EXPIRING_SOON_MARGIN_MINUTES = 10
DEFAULT_REFRESH_ATTEMPTS = 3
REFRESH_BASE_DELAY_MS = 1000

# HTTP timeouts (seconds)
FLOW_CONNECT_TIMEOUT = 30.0
FLOW_TOTAL_TIMEOUT = 60.0
CHECK_CONNECT_TIMEOUT = 10.0
CHECK_TOTAL_TIMEOUT = 30.0
