import matplotlib

# plots are only written to files
matplotlib.use('Agg')
