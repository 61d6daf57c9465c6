"""PromptEnhancer core: passwordless auth, prompt enhancement and history."""

__version__ = "1.0.0"
