"""Helpers for a local development server: finding and checking free TCP ports."""