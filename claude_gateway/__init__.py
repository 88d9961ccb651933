"""Claude Gateway: one Messages API in front of several Anthropic backends"""

__version__ = "1.0.0"
