from setuptools import setup, find_packages

setup(
    name="httpbench",
    version="0.1.0",
    description="Concurrent HTTP load generator with per-phase request timings",
    packages=find_packages(include=["httpbench", "httpbench.*"]),
    install_requires=[
        'pyyaml>=5.1',
        'requests>=2.25.0',
        'urllib3>=1.26',
        'pydantic>=2.0',
        'click>=8.0',
        'rich>=10.0',
        'numpy>=1.17',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'httpbench=httpbench.cli:main',
        ],
    },
    python_requires='>=3.8',
)
