"""Reports and output tables of asvflow.

Copyright © 2025 Pixelgen Technologies AB.
"""
