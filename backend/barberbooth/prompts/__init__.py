from barberbooth.prompts.manager import PromptManager

__all__ = ["PromptManager"]
