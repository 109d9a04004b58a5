"""Variations module"""
