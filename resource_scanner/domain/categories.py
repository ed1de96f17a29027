"""Static category configuration.

Order matters: it breaks ties in the rotation policy.
"""
from typing import Dict
from resource_scanner.domain.models import Category


CATEGORIES: Dict[str, Category] = {
    category.key: category
    for category in [
        Category(
            key="web-automation",
            name="Web Automation",
            description="Tools and frameworks for web browser automation",
            icon="🌐",
            search_terms=(
                "selenium webdriver",
                "playwright browser automation",
                "cypress testing",
                "puppeteer automation",
                "webdriverio testing",
                "testcafe automation",
            ),
            languages=("JavaScript", "Python", "Java", "C#", "TypeScript"),
            primary_color="#4CAF50",
        ),
        Category(
            key="mobile-automation",
            name="Mobile Automation",
            description="Frameworks for mobile app testing",
            icon="📱",
            search_terms=(
                "appium mobile testing",
                "detox react native testing",
                "espresso android testing",
                "xcuitest ios testing",
                "mobile automation framework",
            ),
            languages=("Java", "JavaScript", "Swift", "Kotlin", "Python"),
            primary_color="#FF9800",
        ),
        Category(
            key="api-testing",
            name="API Testing",
            description="Tools for REST API and web service testing",
            icon="🔌",
            search_terms=(
                "rest assured api testing",
                "postman newman testing",
                "supertest api testing",
                "api automation framework",
                "http testing library",
                "rest api testing",
            ),
            languages=("Java", "JavaScript", "Python", "C#", "Go"),
            primary_color="#2196F3",
        ),
        Category(
            key="unit-testing",
            name="Unit Testing",
            description="Unit testing frameworks and libraries",
            icon="🧪",
            search_terms=(
                "junit testing framework",
                "testng testing framework",
                "jest testing framework",
                "mocha testing framework",
                "pytest testing framework",
                "nunit testing framework",
                "rspec testing framework",
            ),
            languages=("Java", "JavaScript", "Python", "C#", "Ruby"),
            primary_color="#9C27B0",
        ),
        Category(
            key="performance-testing",
            name="Performance Testing",
            description="Load testing and performance monitoring tools",
            icon="⚡",
            search_terms=(
                "jmeter performance testing",
                "locust load testing",
                "k6 performance testing",
                "gatling load testing",
                "artillery load testing",
                "performance testing framework",
            ),
            languages=("Java", "Python", "JavaScript", "Scala", "Go"),
            primary_color="#F44336",
        ),
        Category(
            key="test-frameworks",
            name="Test Frameworks",
            description="Comprehensive testing frameworks and runners",
            icon="🏗️",
            search_terms=(
                "cucumber bdd testing",
                "testng framework",
                "pytest framework",
                "rspec framework",
                "test automation framework",
                "bdd testing framework",
            ),
            languages=("Java", "Python", "Ruby", "JavaScript", "C#"),
            primary_color="#607D8B",
        ),
        Category(
            key="utility-tools",
            name="Testing Utilities",
            description="Helper tools and utilities for testing",
            icon="🛠️",
            search_terms=(
                "test data generator",
                "mock testing library",
                "test report generator",
                "test utility library",
                "testing helper tools",
                "automation utilities",
            ),
            languages=("JavaScript", "Python", "Java", "TypeScript", "Go"),
            primary_color="#795548",
        ),
        Category(
            key="ci-cd-testing",
            name="CI/CD Testing",
            description="Tools for continuous integration and testing",
            icon="🔄",
            search_terms=(
                "github actions testing",
                "jenkins testing pipeline",
                "ci cd testing",
                "continuous testing",
                "test automation pipeline",
                "devops testing",
            ),
            languages=("YAML", "Shell", "JavaScript", "Python", "Go"),
            primary_color="#3F51B5",
        ),
    ]
}
