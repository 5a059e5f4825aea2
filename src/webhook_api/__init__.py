"""FastAPI application for the PerfectPay webhook provisioning service."""
