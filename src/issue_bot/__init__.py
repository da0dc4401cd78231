"""
Discord Issue Bot (Discord + Bedrock Claude + GitHub)

Where: long-running Discord gateway process.
What:  Collect text/images in a thread, generate structured issues with Claude, file them on GitHub.
Why:   Turn free-form bug reports and ideas into well-formed tickets without leaving chat.
"""

__version__ = "0.1.0"

__all__ = [
    "bot",
    "config",
    "errors",
    "generation",
    "github",
    "images",
    "listing",
    "llm",
    "logs",
    "models",
    "render",
    "session",
    "transport",
    "validator",
]
