"""Package setup for wp_static."""

from setuptools import setup, find_packages

setup(
    name="wp-static",
    version="1.0.0",
    description="Mirror a WordPress (or any) website into a static file tree",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "requests>=2.31.0",
        "beautifulsoup4>=4.12.0",
        "lxml>=5.0.0",
        "urllib3>=2.0.0",
        "tqdm>=4.66.0",
        "colorlog>=6.8.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "wp-static=wp_static.cli:main",
        ],
    },
)
