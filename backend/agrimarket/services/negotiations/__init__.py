"""Negotiation ledger rules and service."""
