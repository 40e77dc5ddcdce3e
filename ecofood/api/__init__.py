"""HTTP surface for barcode scans and product analysis."""
