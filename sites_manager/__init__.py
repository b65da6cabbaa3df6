"""Sites manager service: sites, their issues and the solutions recorded against them."""

__version__ = "1.0.0"
