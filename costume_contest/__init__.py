"""Costume contest voting service."""
