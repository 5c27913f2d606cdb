"""Boxoffice ticketing backend"""
