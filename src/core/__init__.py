"""Core domain package for the bridge.

Core contains correlation, routing, revoke and bootstrap logic without any
Telegram, WhatsApp or storage-specific code, keeping the business logic
portable.
"""
