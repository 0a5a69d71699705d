from setuptools import setup, find_packages

setup(
    name="silent-karaoke",
    version="0.1.0",
    description="Sing along to a backing track with word-by-word lyrics, record your vocal with latency compensation and export a mixed WAV",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    python_requires=">=3.10",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"silent_karaoke": ["py.typed"], "silent_karaoke.i18n": ["*.json"]},
    install_requires=[
        "colorama>=0.4.6",
        "numpy",
        "sounddevice",
        "soundfile",
        "typer",
    ],
    extras_require={
        "dev": [
            "pytest",
            "black",
            "ruff",
            "mypy",
        ]
    },
    entry_points={
        "console_scripts": [
            "silent-karaoke=silent_karaoke.cli:main",
        ]
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio :: Capture/Recording",
        "Topic :: Multimedia :: Sound/Audio :: Mixers",
    ],
    keywords="karaoke lyrics lrc srt ass recording wav mixing latency",
)
