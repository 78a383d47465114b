"""SHL assessment recommender: embedding retrieval, test-type balancing and recall@k evaluation."""
