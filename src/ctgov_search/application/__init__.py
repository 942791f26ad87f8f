"""
Application Layer - Use cases built on the domain entities.

Contains:
- matching: Patient eligibility matching, scoring and ranking
- trends: Trend aggregation over large study sets
"""
