"""Provider-agnostic building blocks shared by every integration."""
