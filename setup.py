from setuptools import setup


setup(
    name="payments-recon",
    version="0.1.0",
    description="Ingest clinical billing payment exports and reconcile applied/unapplied balances",
    packages=["payments_recon"],
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
        "streamlit",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "payments-recon=payments_recon.cli:main",
        ]
    },
)
