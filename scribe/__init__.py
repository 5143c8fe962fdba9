"""
Scribe - Type-Along Coding Tutor

A terminal tutor that teaches you to build a project by typing it line by line
against a reference transcript, while Claude narrates and checks the work.
"""

__version__ = "0.1.0"
