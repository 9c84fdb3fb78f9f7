"""External service integrations: threat intelligence feeds and the AI classifier."""
