from setuptools import setup, find_packages

setup(
    name="whisper-risk-engine",
    version="1.0.0",
    packages=find_packages(include=["whisper_risk_engine", "whisper_risk_engine.*"]),
    install_requires=[
        "numpy",
    ],
    extras_require={
        "test": ["pytest"],
    },
    author="Jonathan Harrison",
    author_email="",
    description="Spam and scam risk scoring engine for short-form voice posts",
    long_description="Multi-signal spam and scam risk scoring engine for transcribed whispers: content patterns, posting behavior and reputation-aware moderation policy.",
    long_description_content_type="text/plain",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.11",
)
