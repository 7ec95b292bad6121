"""Presenters package for Schedule Buddy application.

This package contains the presenter that coordinates the reminder engine
and the view following the MVP (Model-View-Presenter) architecture pattern.
"""
