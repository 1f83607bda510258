"""Acquisitions API: user accounts, role-based access and tiered request throttling."""
