"""Apify platform entry point"""
