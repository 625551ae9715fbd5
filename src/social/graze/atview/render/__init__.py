"""
Record Presentation

Key Components:
- value.py: renders arbitrary JSON record values into a presentation tree
- links.py: deep links to third-party sites for known record collections
"""
