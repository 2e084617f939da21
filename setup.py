from setuptools import find_packages, setup

setup(
    name='service-jobflow',
    version='1.0.0',
    description='Status workflow engine for field service jobs',
    packages=find_packages(exclude=[
        'jobflow.test',
        'jobflow.test.*',
    ]),
    python_requires='>=3.8',
    install_requires=[
        'python-dateutil',
        'requests',
        'simplejson',
    ],
    extras_require={
        'test': [
            'mock',
            'pytest',
        ],
    },
)
