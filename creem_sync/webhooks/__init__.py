"""Webhook inbound system.

Receives Creem webhooks. Each webhook is signature-verified, parsed into
an event envelope, and routed to the subscription reconciler, the access
signal deriver, and the host's callbacks.
"""
