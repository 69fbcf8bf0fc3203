"""Image product recognizers: vision-language model first, label detection as fallback."""
