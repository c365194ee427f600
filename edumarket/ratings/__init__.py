"""Course ratings module."""
