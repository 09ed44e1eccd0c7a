class LLMServiceError(Exception):
    """Base exception for LLM services."""
    pass

class LLMAPIError(LLMServiceError):
    """Exception for errors during LLM API calls."""
    pass

class LLMResponseParseError(LLMServiceError):
    """Exception for errors when parsing LLM responses."""
    pass


class ClassificationError(LLMServiceError):
    """A post could not be classified after all retries."""
    pass


class AggregationError(LLMServiceError):
    """The pooled observations could not be summarized."""
    pass
