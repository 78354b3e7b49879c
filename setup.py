"""
Setup script for Backup Monitor.

Usage:
    pip install -e .[test]

Installs the `backup-monitor` command.
"""
from setuptools import setup

setup(
    name='tm-backup-monitor',
    version='1.0.0',
    description='Time Machine backup-overdue monitor and notifier for macOS',
    python_requires='>=3.9',
    packages=[
        'monitor',
        'storage',
        'config',
        'app',
    ],
    py_modules=['backup_monitor'],
    install_requires=[
        'rumps; sys_platform == "darwin"',
    ],
    extras_require={
        'test': [
            'pytest',
            'hypothesis',
        ],
    },
    entry_points={
        'console_scripts': [
            'backup-monitor=backup_monitor:main',
        ],
    },
)
