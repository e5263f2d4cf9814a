"""External services: the Teams assignments API and Notion."""
