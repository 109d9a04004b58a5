"""Collections module"""
