"""
Palette Sniffer Colors Module

Provides pixel sampling, k-means clustering, palette categorization and
HTML/CSS color evidence parsing used by both the image and the webpage
extraction paths.
"""
