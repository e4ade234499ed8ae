from setuptools import setup, find_packages

setup(
    name="ecodynamics",
    version="0.1.0",
    author="Bernardo Rivas",
    author_email="bernardo.dopradorivas@utoledo.edu",
    description="Numerical core for population-ecology teaching models.",
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    packages=find_packages(include=['EcoDynamics', 'EcoDynamics.*']),
    install_requires=[
        "numpy",
        "scipy",
        "matplotlib",
        "pyyaml",
        "joblib",
    ],
    extras_require={
        'test': ['pytest']
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.8',
)
