"""
Hotline Training Server.

Session transcript pipeline for simulated crisis-line training calls.
"""
