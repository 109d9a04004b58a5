"""Colors module"""
