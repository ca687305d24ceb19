"""
MeetMatch
按轮次为等待中的参与者安排一对一会面，尽量避免重复配对
"""

__version__ = "0.1.0"
