"""Images module"""
