from setuptools import setup, find_packages

setup(
    name='papraIngest',
    version='0.1.0',
    packages=find_packages(exclude=["tests", "tests.*"]),
    description='papraIngest uploads PDF files and folders to a Papra document-management instance. Documents can be tagged with user-supplied tags or with tags inferred from their content by a single LLM call (OpenRouter), based on a compact heuristic summary of the PDF text.',
    url='https://github.com/Nyokinokonoko/papra-ingest-tool',
    install_requires=[
        "PyMuPDF>=1.23.6",
        "litellm>=1.40.0",
        "tiktoken>=0.4.0,<1",
        "tenacity>=8.2.3",
        "httpx>=0.24",
        "scikit-learn>=1.0",
    ],
    extras_require={
        'test': ["pytest>=7"],
    },
    entry_points={
        'console_scripts': [
            'papraIngest = papraIngest.main:run',
        ],
    },
)
