"""Partner Portal — API client for the ISP billing and voucher backend.

The authenticated client that the partner dashboard uses to manage
customers, billing plans, vouchers, transactions and NAS devices:
bearer-token attachment, one-shot token refresh, and redirect-based
recovery when a session cannot be restored.
"""

__version__ = "0.1.0"
