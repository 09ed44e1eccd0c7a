"""
Sentiment analysis prompt templates for LLM services.
"""

from typing import List

from sentiment_backend.domain.models.sentiment import RedditPost

# Long self posts are cut to keep a single classification call small
MAX_POST_CHARS = 8000
# Pooled observations beyond this are not sent to the aggregation call
MAX_POOLED_STATEMENTS = 200


class SentimentAnalysisPrompts:
    """
    Sentiment analysis prompt templates.
    """

    @staticmethod
    def post_prompt(post: RedditPost, keyword: str) -> str:
        """
        Get the per-post sentiment classification prompt.

        Args:
            post: Reddit post to classify
            keyword: Search keyword the post was found with

        Returns:
            Prompt string
        """
        text = post.text
        if len(text) > MAX_POST_CHARS:
            text = text[:MAX_POST_CHARS] + " [truncated]"

        subreddit = f"r/{post.subreddit}" if post.subreddit else "an unknown subreddit"

        return f"""
        You are an expert sentiment analyst. Analyze the sentiment of the following Reddit post
        from {subreddit} towards the topic "{keyword}".

        CRITICAL INSTRUCTIONS:
        - Judge the sentiment towards "{keyword}" only, not the general mood of the author
        - Classify the overall sentiment as exactly one of: positive, negative, mixed, neutral
        - Use "mixed" when the post contains clear positive AND clear negative points
        - Use "neutral" when the post is factual or does not take a position
        - List the concrete positive points the post makes about "{keyword}" (may be empty)
        - List the concrete negative points the post makes about "{keyword}" (may be empty)
        - Each point is a short, self-contained sentence; do not quote usernames
        - Write a one sentence summary of the post

        POST TITLE: {post.title}

        POST TEXT:
        {text}

        Return your analysis in the following JSON format:
        {{
            "sentiment": "positive | negative | mixed | neutral",
            "positives": ["POSITIVE POINT 1", "POSITIVE POINT 2"],
            "negatives": ["NEGATIVE POINT 1"],
            "summary": "ONE SENTENCE SUMMARY"
        }}
        """

    @staticmethod
    def aggregation_prompt(
        positives: List[str], negatives: List[str], keyword: str
    ) -> str:
        """
        Get the prompt that summarizes observations pooled across posts.

        Args:
            positives: Positive points collected from every classified post
            negatives: Negative points collected from every classified post
            keyword: Search keyword of the run

        Returns:
            Prompt string
        """
        positive_block = SentimentAnalysisPrompts._bullet_list(positives)
        negative_block = SentimentAnalysisPrompts._bullet_list(negatives)

        return f"""
        You are an expert sentiment analyst summarizing what Reddit users say about "{keyword}".
        The points below were extracted from {len(positives)} positive and {len(negatives)} negative
        observations across several posts.

        POSITIVE POINTS:
        {positive_block}

        NEGATIVE POINTS:
        {negative_block}

        CRITICAL INSTRUCTIONS:
        - Decide the overall sentiment towards "{keyword}" as exactly one of: positive, negative, mixed, neutral
        - Merge duplicate or near-duplicate points
        - Keep the 3-7 most frequently raised positive points and the 3-7 most frequently raised negative points
        - Write a 2-4 sentence summary of public opinion about "{keyword}"
        - Do not invent points that are not supported by the lists above

        Return your analysis in the following JSON format:
        {{
            "overall_sentiment": "positive | negative | mixed | neutral",
            "summary": "SUMMARY OF PUBLIC OPINION",
            "key_positives": ["KEY POSITIVE 1", "KEY POSITIVE 2"],
            "key_negatives": ["KEY NEGATIVE 1", "KEY NEGATIVE 2"]
        }}
        """

    @staticmethod
    def _bullet_list(statements: List[str]) -> str:
        if not statements:
            return "- (none)"
        return "\n        ".join(
            f"- {statement}" for statement in statements[:MAX_POOLED_STATEMENTS]
        )
