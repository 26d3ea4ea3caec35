"""
Infrastructure package: transports, settings persistence and logging.
"""
