"""
Task-specific prompt templates for LLM services.
"""

from sentiment_backend.services.llm.prompts.tasks.sentiment_analysis import SentimentAnalysisPrompts

__all__ = [
    "SentimentAnalysisPrompts",
]
