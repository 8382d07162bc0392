"""
Centralized Audit Logging System

Tracks who did what, when, and on which resource for complete system transparency.
"""

default_app_config = 'audit.apps.AuditConfig'

