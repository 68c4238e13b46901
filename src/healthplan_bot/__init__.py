"""Health plan assistant bot: Azure OpenAI completions grounded on Azure AI Search."""

__version__ = "0.1.0"
