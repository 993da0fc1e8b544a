"""
Outbound integrations (notifications).
"""
