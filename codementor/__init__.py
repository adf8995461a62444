"""
CodeMentor - AI Coding Tutor

A terminal tutor that teaches programming one lesson at a time.
Pick a language, talk the lesson through with the tutor, take a short
mastery quiz and review a per-objective report before moving on.
"""

__version__ = "0.1.0"
