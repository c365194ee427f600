"""EduMarket course marketplace ledger API."""
