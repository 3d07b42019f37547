#!/usr/bin/env python
"""
Test runner script for the back-office apps
Usage: python run_tests.py [app ...]
"""
import os
import sys
import django
from django.conf import settings
from django.test.utils import get_runner

APPS = [
    'backoffice.core',
    'backoffice.organizations',
    'backoffice.catalog',
    'backoffice.parties',
    'backoffice.orders',
    'backoffice.delivery',
    'backoffice.notifications',
    'backoffice.reports',
]

if __name__ == "__main__":
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'backoffice.config.settings')
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner()
    labels = [f'backoffice.{name}' for name in sys.argv[1:]] or APPS
    failures = test_runner.run_tests(labels)
    sys.exit(bool(failures))
