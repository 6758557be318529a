"""
Document Q&A Backend Application.

A FastAPI service that extracts text from uploaded PDF/DOCX documents and
answers questions about them with Google Gemini.
"""

__version__ = "1.0.0"
