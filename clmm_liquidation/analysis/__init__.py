"""Margin curves, portfolio scans and results storage"""
