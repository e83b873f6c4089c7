"""
quizeval
Quiz evaluation and performance aggregation engine.
"""
__version__ = "1.0.0"
