from setuptools import setup, find_packages

setup(
    name='infisical-api',
    version='1.0.0',
    description='Python client and CLI for the Infisical secrets management and KMS API',
    long_description=open('README.md').read() if __import__('os').path.exists('README.md') else '',
    long_description_content_type='text/markdown',
    packages=find_packages(exclude=['tests', 'tests.*']),
    py_modules=['infisical_cli', 'config'],
    install_requires=[
        'requests>=2.31.0',
        'click>=8.1.7',
        'PyYAML>=6.0.1',
        'rich>=13.7.0',
        'keyring>=24.3.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.4.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'infisical-api=infisical_cli:cli',
        ],
    },
    python_requires='>=3.8',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Security',
        'Topic :: Software Development :: Libraries :: Python Modules',
    ],
    keywords='infisical secrets kms security devops',
)
