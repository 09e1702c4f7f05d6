"""
AIQuiz - manager back-office for university quiz content.

Professors and admins sign in, invite colleagues to subjects, upload
course documents and share short-lived download links.
"""

__version__ = "0.1.0"
