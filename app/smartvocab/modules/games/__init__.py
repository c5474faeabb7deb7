"""
Extra materials page: audio stories, flying-words canvas and the SVG word cycler.
"""
