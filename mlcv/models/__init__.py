"""
Classifier interface and adapters for mlcv.

Includes:
- base_model: BaseClassifier interface and Hyperparameters record
- mlp_model: scikit-learn MLPClassifier adapter
"""
