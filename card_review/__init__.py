"""Business-rule review of Azure DevOps pull requests against their work items."""

__version__ = "0.1.0"
