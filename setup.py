import setuptools

setuptools.setup(
    name="market_making_game",
    version="0.1.0",
    description="Real-time server for a classroom market-making game on a European call option.",
    packages=setuptools.find_packages(include=["mmg", "mmg.*"]),
    install_requires=[
        "numpy",
    ],
    extras_require={
        "server": [
            "eventlet",
            "flask",
            "flask-socketio",
            "pandas",
            "flatten_dict",
            "werkzeug",
        ],
        "test": [
            "pytest>=8.0",
            "pytest-timeout>=2.3",
        ],
    },
)
