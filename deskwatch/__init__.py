"""deskwatch - Linear service-desk hashtag relay to Slack"""
__version__ = "0.1.0"
