"""
Robot Toy Runtime Version

v1.0.0 Changes:
- Block programs compile to ProgramStep data instead of script text
- Cancellable async interpreter with while-moving / repeat-while-moving groups
- Jump, lights and fly components gated by user toggles
"""

__version__ = "1.0.0"
__author__ = "Robot Toy Developers"
__status__ = "Beta"
