"""Provisioning core for the PerfectPay webhook receiver.

Holds the domain models, plan catalog, signature verification, plan
resolution, the webhook event state machine and the user provisioner.
The HTTP surface lives in the ``webhook_api`` package.
"""

__version__ = "0.1.0"
