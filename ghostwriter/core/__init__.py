"""Core infrastructure modules"""
