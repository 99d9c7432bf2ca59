"""
Application Layer

Contains:
- normalizer: Upstream payload -> canonical record mapping
- history: Research history store and recorder
"""
