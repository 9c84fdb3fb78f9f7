"""
Test configuration shared by all suites.

Environment variables are set before any ``smells_phishy`` import so the
global settings object is built from test values.
"""

import os

test_env_vars = {
    'ENVIRONMENT': 'development',
    'DEBUG': 'true',
    'LOG_LEVEL': 'ERROR',
    'LOG_FORMAT': 'console',
    'ENABLE_METRICS': 'true',
    'GOOGLE_SAFE_BROWSING_API_KEY': 'test_gsb_api_key',
    'PHISHTANK_API_KEY': 'test_phishtank_app_key',
    'URLSCAN_API_KEY': 'test_urlscan_api_key',
    'GEMINI_API_KEY': 'test_gemini_api_key',
    'RATE_LIMIT_MAX_REQUESTS': '10',
    'RATE_LIMIT_WINDOW_SECONDS': '3600',
}

for key, value in test_env_vars.items():
    os.environ[key] = value

# Never reach a real Redis from tests
os.environ.pop('REDIS_URL', None)
