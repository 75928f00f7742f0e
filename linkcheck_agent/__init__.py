"""LinkCheck agent: redirect, DNS and threat-intel checks feeding a Gemini phishing verdict."""

__version__ = "0.1.0"
