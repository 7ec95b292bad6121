"""Views package for Schedule Buddy application."""
