"""Reusable building blocks shared by the bookstore vertical.

Pure-function rules, the generic async repository with paging and sort
allow-lists, and dataclass domain configuration.
"""
