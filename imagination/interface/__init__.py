"""Terminal interface for the Imagination role-playing bot"""
