"""
HTTP API for the AIQuiz manager back-office.

The application factory lives in aiquiz.api.app.
"""
