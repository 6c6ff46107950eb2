"""Бэкенд Apex Care: движок промоакций."""
