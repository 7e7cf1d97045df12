"""
Group order arithmetic: weights, delivery fees, sharer fees and settlements.
"""
