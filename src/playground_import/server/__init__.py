"""HTTP, Celery and MCP surfaces for repository imports."""
