from setuptools import setup, find_packages

setup(
    name="pong_regression",
    version="0.1.0",
    description="Regression experiments on simulated pong ball trajectories",
    author="zhenchenZ",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.8",
    install_requires=[
        "torch>=2.0.0",
        "numpy>=1.24.0",
        "pandas>=2.0.0",
        "tensorboard>=2.13.0",
        "pyyaml>=6.0",
        "tqdm>=4.65.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
)
