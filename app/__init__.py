"""
CodeCraft Backend

Data layer for the CodeCraft code-review dashboard: user accounts,
AI-generated review results, saved reviews and GitHub App installations.
"""

__version__ = "1.0.0"
__author__ = "CodeCraft Team"
