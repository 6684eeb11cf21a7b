"""Imagination: dialogue orchestration for a voice-enabled role-playing chat bot"""
