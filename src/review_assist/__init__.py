"""Generate platform-tailored reviews from a business's real reviews and hand them to the visitor."""

__all__ = [
    "business",
    "clipboard",
    "config",
    "console",
    "errors",
    "generation",
    "models",
    "prompt",
    "review_source",
    "schema",
    "server",
    "trigger",
]
