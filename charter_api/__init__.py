"""Charter brokerage status tracking API."""
