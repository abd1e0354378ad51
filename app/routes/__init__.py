"""
Routes package, one blueprint per module
"""
