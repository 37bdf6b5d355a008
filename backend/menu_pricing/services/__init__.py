"""
Services: the pure pricing engine (pricing/) and the admin/checkout
domain services built on it (domain/).
"""
