"""Client-side search state.

The client package models the inventory page: the filter set and its URL form, the browser
location, the HTTP client for the marketplace API and the controller that keeps them consistent.
"""
