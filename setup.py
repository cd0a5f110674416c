from setuptools import setup, find_packages

setup(
    name="bilgibite-quiz",
    version="0.1.0",
    description="Turkish exam-preparation quiz engine with a text-mode tutor",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "PyYAML>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "bilgibite-quiz=bilgibite_quiz.tutor:main",
        ],
    },
)
