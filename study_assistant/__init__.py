"""
Study assistant backend. Notes, GitHub projects and placement questions
retrieved as context for LLM answers.
"""

__version__ = "0.1.0"
