"""
Microsoft Teams assignment sync.

Fetches class assignments from the Teams assignments API, writes local
JSON/CSV/Notion-payload exports and optionally mirrors them into a
Notion database.
"""

__version__ = "1.0.0"
