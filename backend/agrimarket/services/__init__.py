"""Marketplace business services: catalog, orders and negotiations."""
