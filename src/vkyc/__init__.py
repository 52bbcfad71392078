"""vKYC session coordination: lifecycle, invites, presence and recordings."""

__version__ = "0.1.0"
