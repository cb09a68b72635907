"""HTTP endpoints for inbound PayPal notifications."""
