from setuptools import find_packages, setup

setup(
    name="pytest-chatreport",
    version="0.1.0",
    description="Send pytest run summaries to Discord and Telegram",
    entry_points={
        "pytest11": ["chatreport = pytest_chatreport.plugin"],
        "console_scripts": ["chat-notify = pytest_chatreport.cli:main"],
    },
    packages=find_packages(
        include=["*"],
        exclude=["tests*"],
    ),
    python_requires=">=3.8.1",
    install_requires=[
        "pytest>=7",
        "pydantic>=2",
        "requests",
    ],
    extras_require={
        "test": [
            "pytest-httpserver",
            "hypothesis",
            "pytest-xdist",
            "pytest-rerunfailures",
            "werkzeug",
        ],
    },
)
