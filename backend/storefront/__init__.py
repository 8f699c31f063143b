"""Retro Storefront catalog core."""
