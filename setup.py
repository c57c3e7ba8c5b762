from setuptools import setup, find_packages

package_name = 'gesturelink'

setup(
    name=package_name,
    version='1.1.0',
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.8',
    install_requires=[
        'setuptools',
        'numpy>=1.24',
        'fastapi>=0.104.0',
        'uvicorn>=0.24.0',
    ],
    extras_require={
        'camera': [
            'opencv-python>=4.8',
            'mediapipe>=0.10.0,<0.10.30',
        ],
        'test': [
            'pytest>=7.0',
            'httpx>=0.25',
        ],
    },
    zip_safe=True,
    description='Hand gesture detection with debounced UDP signalling',
    license='MIT',
    tests_require=['pytest'],
    entry_points={
        'console_scripts': [
            'gesture-detector = gesture_detector.main:main',
            'gesture-listener = gesture_listener.main:main',
        ],
    },
)
