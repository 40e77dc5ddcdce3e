"""
EcoFood
=======

Barcode-driven food analysis: environmental, nutritional and safety scores
plus per-ingredient risk, GMO and sustainability classification.
"""

__version__ = "0.1.0"
