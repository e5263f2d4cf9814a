"""Notion database client and property mapping."""
