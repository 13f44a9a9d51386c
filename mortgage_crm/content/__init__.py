"""Content package - generated text for the user.

Modules:
    - daily_brief: Dashboard digest of counts, follow-ups and open needs
"""
