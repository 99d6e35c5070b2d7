# Utils package for Golden Market backend
