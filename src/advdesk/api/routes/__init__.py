"""
API route modules.
"""

from advdesk.api.routes import chat, files, knowledge, petitions, reviews, settings, users

__all__ = ["chat", "files", "knowledge", "petitions", "reviews", "settings", "users"]
