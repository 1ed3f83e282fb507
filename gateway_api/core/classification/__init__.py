"""Classification layer - Clasificación de topics."""

from .topic_classifier import TopicClassifier, TopicInfo, classify_topic

__all__ = ["TopicClassifier", "TopicInfo", "classify_topic"]
