"""Third-party integrations domain.

This module manages integrations with external accounting and commerce systems:
- QuickBooks Online accounting integration (OAuth with refresh tokens)
- Shopify commerce integration (offline access tokens)
- Integration registry, connection management and data synchronization
"""
