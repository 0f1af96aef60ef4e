"""clawde - PTY wrapper that turns AI?/AI!/AI: source comments into assistant prompts."""

__version__ = "0.3.0"
