"""BilgiBite quiz session engine and console tutor."""

__version__ = "0.1.0"
