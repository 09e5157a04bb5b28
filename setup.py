from setuptools import setup, find_packages

setup(
    name="pulse_monitor",
    version="0.1.0",
    description="Fingertip camera heart-rate monitor with a stabilised BPM lock",
    packages=find_packages(exclude=["tests"]),
    py_modules=["main"],
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24",
        "opencv-python>=4.8",
    ],
    extras_require={
        "dev": ["pytest>=7.4"],
    },
    entry_points={
        "console_scripts": [
            "pulse-monitor=main:main",
        ]
    },
)
