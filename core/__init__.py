"""Settings, logging and metrics shared by the PayPal client and listener."""
