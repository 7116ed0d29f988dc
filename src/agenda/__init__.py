"""Agenda - scheduling core for CRM appointments and blocked time."""
