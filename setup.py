from setuptools import setup, find_packages

setup(
    name='deepsize',
    python_requires='>=3.8',
    version='0.1.0',
    description='Total memory footprint of Python values, counting shared '
                'objects once and terminating on reference cycles',

    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3 :: Only',
        'Topic :: Software Development :: Debuggers',
    ],

    install_requires=[
        'numpy',          # Size functions for arrays and NumPy scalars
        'pydantic>=2',    # Settings validation; `deep_size` on models
    ],

    packages=find_packages(exclude=['tests', 'tests.*']),

    extras_require = {
        'test': [
            'pytest',
        ],
        'all': [
            'pytest',
        ]
    },
)
