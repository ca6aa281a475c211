"""
CaseChron - litigation chronology backend
"""
__version__ = "1.0.0"
